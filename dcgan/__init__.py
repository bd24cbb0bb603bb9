"""
Deep Convolutional GAN (DCGAN) module for image generation.

This module provides a DCGAN trained on the images of a single class of an
image dataset (CIFAR-10 frogs by default), with a frozen-discriminator
adversarial composite driving the generator updates.
"""
